"""Guideline matching, journey navigation, tool calling and response composition."""

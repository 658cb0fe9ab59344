"""Conversation state: sessions and their event logs."""

"""Conversation core: orchestration, tools and text heuristics."""

"""Ranked leaderboard views."""

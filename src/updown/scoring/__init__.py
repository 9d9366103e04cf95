"""Bet settlement and point scoring."""

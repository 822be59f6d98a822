"""
Top-level package for the Discord vote bot.

This package hosts:
- config loading and validation
- source clients that pull voter lists from ranking sites
- the vote store, deduplication and poll cycle
- Discord client and slash command handlers
"""

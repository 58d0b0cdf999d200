"""Core domain package for diaryscope.

Core contains URL rules, block assembly and the sync lifecycle without any
Telegram, Notion or storage-specific code, keeping the business logic portable.
"""

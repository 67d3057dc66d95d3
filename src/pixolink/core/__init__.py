"""Core configuration, shared types and exceptions for PixoLink."""

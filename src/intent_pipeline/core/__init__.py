"""Core types, domain models and exceptions for the intent pipeline."""

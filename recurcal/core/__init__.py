"""Configuration, logging and clock helpers."""

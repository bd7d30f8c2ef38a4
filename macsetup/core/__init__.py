"""Core domain — models, engine, persistence, and services."""

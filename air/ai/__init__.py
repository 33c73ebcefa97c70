"""
AI Module - providers, routing, fallback and monitoring.
"""

"""Configuration classes for datasources."""

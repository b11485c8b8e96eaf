"""Entity definitions for the supported datasources."""

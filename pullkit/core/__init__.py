"""Core module for pullkit."""

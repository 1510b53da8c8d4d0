"""Utility modules for sfpdump."""

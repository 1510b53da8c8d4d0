"""Core register layout, tables and conversions for SFF-8472 EEPROMs."""

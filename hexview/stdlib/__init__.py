"""Standard library of adapters and prompts shipped with hexview."""

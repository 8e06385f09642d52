"""Market validation deep research service."""

"""Domain layer: immutable entities and the weight allocation service."""

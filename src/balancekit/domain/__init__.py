"""Domain layer for balancekit: entities, balancing algorithms and services."""

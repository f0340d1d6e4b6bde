"""Domain layer: entities and the interfaces the sync engine depends on."""

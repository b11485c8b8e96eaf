"""Platform package: datasources, entity registries and the pagination engine."""

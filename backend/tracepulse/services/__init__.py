"""Analysis services: graph, correlation, evidence, reporting and collaborators."""

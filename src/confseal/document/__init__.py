"""Configuration document: field naming, persisted format, standard sections and lifecycle."""

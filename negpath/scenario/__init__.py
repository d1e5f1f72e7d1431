"""Scenario model and collaborator interfaces for negative-path fuzzing."""

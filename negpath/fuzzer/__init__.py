"""Negative-path mutation engine.

Pairs an eligibility filter with a mutation applicator for every failure
mode in the catalog:
  - Filters encode which protocol checks run first, so a mutation never
    trips a different failure that would mask the intended one
  - Applicators perturb exactly one thing and hand over to the driver
  - A seeded selector picks one eligible mode per scenario
"""

"""Test package marker for the mailwire suites.

What:
  Marks ``tests`` as a package so the root ``conftest.py`` is imported once
  for both ``tests/unit`` and ``tests/e2e``.

Invariants & Safety:
  - The file stays side-effect free.
"""

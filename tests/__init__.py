"""
Test suite for schemaguard.

- Unit tests for individual components, run against mocked pools
- Integration tests against a live MySQL server (marked ``integration``)
"""

"""Concursos-ETL Test Suite.

Test Structure:
- unit/: Isolated tests; HTTP sessions and psycopg2 are mocked
- integration/: Tests against a dedicated PostgreSQL database (-m integration)
"""

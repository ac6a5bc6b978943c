"""
Common utilities shared across Concursos-ETL services.

Pure helpers reused by several services: text normalization and Brazilian
state detection.
"""

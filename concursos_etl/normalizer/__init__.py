"""
Normalizer Service

This service turns raw listings scraped from the concursos sites into the
row format of the target tables.

Key responsibilities:
- Split salary and vacancy text, parse numeric salary/vacancy values
- Split roles from education levels and parse application deadlines
- Guess the effective city and detect mentioned states
- Build `job_openings`, `news_articles` and `predicted_openings` rows
"""

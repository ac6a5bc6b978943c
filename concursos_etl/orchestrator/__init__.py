"""
Orchestrator Service

Runs one complete scrape of a content type: every enabled source is paged
through, new listings are normalized and the Reconciler writes the result.
"""

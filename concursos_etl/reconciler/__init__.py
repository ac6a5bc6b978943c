"""
Reconciler Service

Upserts normalized rows by link, tags open postings with the run id and
removes postings that the latest run no longer lists.
"""

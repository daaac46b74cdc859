"""Services Layer — the fixed query catalog and the ProgressDatabase facade.

Invariants:
    - Catalog split by table family (achievements, leaderboard, statistics)
    - No SQL text assembled from untrusted values
"""

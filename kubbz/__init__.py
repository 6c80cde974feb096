"""
Kubbz API - tournament management for a recreational kubb club

Responsibilities:
- Tournament catalog (CRUD, derived lifecycle status)
- Registration ledger with capacity accounting
- Player/admin registration workflows
- Identity (accounts, sessions, profiles)
- Rankings leaderboard, winners gallery, image gallery metadata
"""

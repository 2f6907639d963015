"""
Shared helpers: errors, patches, snapshots, reconciliation and logging
"""

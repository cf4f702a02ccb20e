# (c) Copyright Datacraft, 2026
"""Document lifecycle workflow: transitions, review cycles, approval and lineage."""

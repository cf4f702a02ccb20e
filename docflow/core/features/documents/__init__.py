# (c) Copyright Datacraft, 2026
"""Documents, their content versions and lineage ancestry."""

"""Spawn-rule engine - trigger matching, templates and the pending-spawn queue."""

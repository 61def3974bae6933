"""Registry instance - market tree bookkeeping."""

"""
Traffic Data Collector
======================

This is the Python package for the Telraam traffic data collector.

HOW IT'S ORGANIZED:
------------------
- models/    = Data structures (what does a reading / a stored file look like?)
- services/  = Workers (fetch from the API, merge, store, run collections)
- utils/     = Helpers (dates, retries, validation)
- config.py  = Settings from environment variables
- main.py    = Command-line entry point
"""

__version__ = "1.0.0"

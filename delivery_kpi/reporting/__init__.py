"""
Terminal reporting for CLI commands.

Modules
-------
formatters : ASCII tables for dashboard, round, forecast, comparison and
             rule-set output. ``None`` renders as "N/A".
"""

"""
Cross-dataset KPI aggregation.

Modules
-------
filters    : HubFilter + select() — depot / store / category and day-range
             pre-filters.
nps        : nps_category(), nps_breakdown(), nps_by_carrier().
dashboard  : aggregate() → DashboardStats; build_dashboard_report() adds the
             detail lists and breakdowns.
ranking    : rank_by_kpi() — best-first ordering with N/A last.
comparison : compare_depots() + kpi_leaderboard() — per-depot leaderboards.
"""

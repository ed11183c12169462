"""
Per-round and per-driver scoring.

Modules
-------
punctuality : evaluate_task() + summarize_punctuality() — window checks,
              early / late deviations, late-over-1h bucket.
capacity    : capacity_totals() — crate counts per type, weight, overflow
              flags against the fixed policy limits.
rounds      : score_round() + tasks_for_round() — RoundStats.
drivers     : driver_stats() + driver_score() — composite 0–100 score;
              driver_performance() and five_star_leaders() rankings.
"""

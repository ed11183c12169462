"""
Loading of rule sets and record exports from JSON files.

Modules
-------
loader : load_rule_set() and the record loaders (tasks, rounds, feedback)
         used by the CLI.
"""

"""
Rule-based classification of hubs, carriers and forecast buckets.

Modules
-------
matcher   : match() / rule_matches() — ordered keyword rules, first match wins.
hubs      : HubClassifier — depot_for(), category_for(), carrier_for(),
            assign_carriers() with the unassigned-drivers list.
forecast  : classify() — depot x carrier x (Matin/Soir, BU/Classique) counts.
"""

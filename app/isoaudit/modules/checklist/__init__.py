"""
Audit checklist capture.

Each standard has a seeded reference checklist (``checklist_items``). A
company's evaluations are stored as one ``audit_results`` row per checklist
item and are written in batches by ``service.reconcile_checklist``.
"""

"""
Company registration.

A company is registered against one standard (ISO 9001 or ISO 27001); that
standard selects the reference checklist its audit results are recorded on.
"""

"""
Training videos per clause template.

A user must mark a template's training video as watched before the
implementation module lets them download the template spreadsheet.
"""

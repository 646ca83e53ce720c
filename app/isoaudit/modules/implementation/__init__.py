"""
Clause template implementation: download the base spreadsheet (after the
clause's training video is watched) and upload the completed copy.
"""

"""
Terminal rendering for kanjiflow.

Components:
- study_visuals: card faces, progress header, session summary, stats tables
"""

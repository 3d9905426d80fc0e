"""
Utility Scripts.

- setup_supabase.py: Print or verify the Supabase schema ReviewHub expects
"""

"""Supabase-backed data services used by the DojoDesk pages."""

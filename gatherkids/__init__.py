"""
gatherkids: data-access core for the gatherKids ministry application.

One adapter contract, two backends (embedded SQLite document store and a
hosted Supabase/PostgREST store), chosen at runtime by
``gatherkids.database.factory.create_database_adapter``.
"""

__version__ = "0.4.0"

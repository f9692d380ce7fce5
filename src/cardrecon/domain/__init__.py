"""Domain layer for cardrecon.

Services are imported from their modules directly; this package stays
import-free so that configuration and the database layer can depend on
``cardrecon.domain.errors`` and ``cardrecon.domain.entities`` without cycles.
"""

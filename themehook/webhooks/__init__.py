"""Theme webhook ingestion.

Receives theme envelopes from the external generator. Each call is
signature-verified, persisted as the single latest theme, and pushed to
connected viewers.
"""

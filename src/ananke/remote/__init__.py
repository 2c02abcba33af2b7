"""Remote fetching: GitHub contents API and plain HTTP downloads."""

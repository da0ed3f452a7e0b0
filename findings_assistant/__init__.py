"""Query routing and intent classification for audit findings."""

"""Profile aggregation, timeline, caching policy and prefetch services.

Services are imported lazily by handlers so that a cold container only pays
for SQLAlchemy and boto3 when the first request needs them.
"""

# Do NOT import services here - use lazy loading in handlers instead

"""Infrastructure layer — document store, change feeds, run trackers.

This layer depends on stdlib and third-party libs (SQLAlchemy, pydantic
for row mapping through domain records). It must never import from
services, commands, or output.
"""

"""Infrastructure layer: database, relationship graph, repositories.

This layer depends on the domain layer, stdlib and third-party libs
(SQLAlchemy, NetworkX). It must never import from services, commands,
or output.
"""

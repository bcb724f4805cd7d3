"""
basecore - shared runtime for every package and app in the repo.

- settings: environment-driven configuration
- logging: root logger setup
- db: SQLAlchemy engine/sessionmaker
- redis: Redis client and lease primitives
"""

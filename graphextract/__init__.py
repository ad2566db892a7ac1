"""Run GraphQL queries against subgraph gateway endpoints, once or on a cron schedule."""

__version__ = "0.1.0"
"""Application services for handpick.

Services implement the release flow, coordinating the domain model with
the git and gh adapters. They never prompt directly: interactive decisions
arrive as callbacks from the CLI layer.
"""

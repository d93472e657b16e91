"""
Querier package for the DIRIGERA environment logger.
Contains the reading history, the hub poller, the history writer,
the HTTP surface and the process supervisor.
"""

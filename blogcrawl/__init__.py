"""Pipelined crawler for paginated blogs.

A frontier follows "older posts" links, a pool of workers extracts one
Record per post page, and a single collector gathers them for the CSV sink.
"""

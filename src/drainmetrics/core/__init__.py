"""Parsing, extraction and aggregation core of drainmetrics."""

"""Bundled protolock builds, laid out as ``<classifier>/protolock[.exe]``."""

"""MindSpace peer-support forum backend."""

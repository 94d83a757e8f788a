"""
Usage log access.

Reading, discovering and modelling the JSONL logs cushare analyzes.
"""

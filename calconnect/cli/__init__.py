"""
CLI layer - typer commands.
"""

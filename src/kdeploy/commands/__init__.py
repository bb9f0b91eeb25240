"""Command handlers: each exposes setup_parser(parser) and execute(args)."""

from penpals.scraper.run import _cli_entrypoint

if __name__ == "__main__":
    # Positional arguments: region code and listing category, e.g. ``AU male``.
    # Results land in $PENPALS_OUTPUT_DIR (default ./output).
    raise SystemExit(_cli_entrypoint())

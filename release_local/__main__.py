"""Run the release-local command line tool with `python -m release_local`."""

from release_local.tool.release_local import main

if __name__ == "__main__":
    main()

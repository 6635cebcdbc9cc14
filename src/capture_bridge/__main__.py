"""Package entrypoint.

`python -m capture_bridge` launches the tray UI.
"""

from capture_bridge.ui.app import main


if __name__ == "__main__":
    main()

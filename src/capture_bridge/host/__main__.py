from capture_bridge.host.main import main


if __name__ == "__main__":
    main()

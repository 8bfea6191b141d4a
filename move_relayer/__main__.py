from move_relayer.cli.main import main

if __name__ == "__main__":
    main()

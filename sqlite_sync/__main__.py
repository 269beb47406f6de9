from sqlite_sync.cli.app import main

main()

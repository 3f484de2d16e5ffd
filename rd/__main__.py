from rd.cli.app import main

main()

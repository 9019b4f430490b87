from tagbuild.cli.app import main

main()

from buildstamp.cli import main

main()

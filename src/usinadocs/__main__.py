from usinadocs.cli import main

main()

from .filter import main

main()

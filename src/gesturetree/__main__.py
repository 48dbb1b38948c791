from gesturetree.app import main

main()

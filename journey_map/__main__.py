from journey_map.cli import main

main()

from traffic_controller.cli import main

main()

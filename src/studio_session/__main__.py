from studio_session.cli.main import main

main()

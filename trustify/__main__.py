from trustify.cli import main_server

main_server()

"""Run the nginx-operator command line tool."""

from nginx_operator.tool.nginx_operator import main

main()

import sys

from sysinfo_server.app import main

sys.exit(main())

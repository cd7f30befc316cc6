import sys

from ip_provisioner.cli import main

sys.exit(main())

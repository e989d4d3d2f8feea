import sys

from hostsweep.main import main

sys.exit(main())

import sys

from cpustat.app import main

sys.exit(main())

import sys

from lanprobe.cli import main

sys.exit(main())

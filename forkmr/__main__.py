import sys

from forkmr.main import main

sys.exit(main())

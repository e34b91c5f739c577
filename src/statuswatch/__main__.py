import sys

from statuswatch.app import main

sys.exit(main())

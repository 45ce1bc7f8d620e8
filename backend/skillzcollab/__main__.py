import sys
from skillzcollab.cli import main

sys.exit(main())

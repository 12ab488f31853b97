import sys

from popg._cli import main

sys.exit(main())

import sys

from speechgen.cli import main


sys.exit(main())

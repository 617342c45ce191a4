import sys

from implgen.compiler.cli import main

sys.exit(main())

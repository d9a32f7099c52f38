"""Allow ``python -m stackinit``."""

from stackinit.pipeline import main

main()

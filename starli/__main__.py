from starli.cli import main

raise SystemExit(main())

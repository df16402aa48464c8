from keygate.server import main

raise SystemExit(main())

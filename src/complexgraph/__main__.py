from complexgraph.cli import main

raise SystemExit(main())

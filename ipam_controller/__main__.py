from ipam_controller.cli import main

raise SystemExit(main())

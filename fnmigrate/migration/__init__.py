#!/usr/bin/env python3
# CUI // SP-CTI
# Controlled by: Department of Defense
# CUI Category: CTI
# Distribution: D -- Authorized DoD Personnel Only
# POC: ICDEV System Administrator
"""fnmigrate C# -> Java Azure Functions migration pipeline.

Eight fixed phases, two of them fatal (preparation, base_scaffold):
  0. Preparation      - backup, manifest, unit inventory
  1. Base scaffold    - func init --worker-runtime java
  2. Dependencies     - NuGet -> Maven, pom.xml, mvn validate
  3. Unit scaffold    - func new per function
  4-5. Handoffs       - code and test translation manifests
  6. Build & validate - mvn compile / test / package
  7. Report           - MIGRATION_REPORT.md

Progress is persisted to progress.json after every phase transition; a run
stopped by a fatal phase or Ctrl-C continues with `migrate --resume`.
"""

__version__ = "0.1.0"

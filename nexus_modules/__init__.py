"""
Nexus domain packages.

Each subpackage is independent and depends only on ``nexus_kernel``:

- ``aml``              -- risk scoring, transaction monitoring, SAR lifecycle
- ``fixed_assets``     -- depreciation methods and schedules
- ``payment``          -- disbursements, limits, settlement, exchange snapshots
- ``payment_gateway``  -- card gateway abstraction and routing
- ``payment_rails``    -- ACH/NACHA, routing numbers, rail validation
- ``crypto``           -- masking, anonymization, pseudonymization
- ``attendance``       -- check-in/out, schedules, lateness and overtime
- ``payroll``          -- payroll engine and Malaysian statutory deductions
- ``reporting``        -- report scheduling, distribution, statutory reports
- ``tenant``           -- tenant lifecycle, context and resolution
- ``localization``     -- locale data, fallback chains, formatting
"""

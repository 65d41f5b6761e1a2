"""
Validation stages, leaves first:

    normalizer   - alias / unit / boolean coercion with an audit trail
    structure    - record envelope and category spec schema checks
    completeness - contract required/recommended fields, placeholder autofill
    evidence     - citation gate for evidence-critical fields
    rule_engine  - condition -> delta rules over a baseline score vector
    decision     - WRITE / REPAIR / REJECT transition and repair prompt
    runner       - wires the stages for one record
    report       - Markdown rendering of a decision
"""

"""Pricing engine — provider price normalization and reconciliation.

Modules:
    config          Centralized thresholds and configuration
    transforms      Raw vendor payload → canonical Quote
    enhancements    Monthly-equivalent cost of enhancement add-ons
    extractors      One comparable monthly price per provider
    local_office    Country office costs merged into a quote
    advisor         Single LLM call for reconciliation recommendations
    reconciliation  Declared vs recomputed totals, ranking and summary

Pipeline:
    extractors (+ transforms, enhancements) → local_office
    → ReconciliationService.build_input_from_enhancements
    → compute_local → (reconcile via advisor)
"""

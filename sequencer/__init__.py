"""
Declarative host-provisioning sequencer.

Loads and validates settings (config_loader), discovers run-time facts
(facts), renders configuration templates (templates), executes ordered
idempotent steps (step_executor) and applies the final state of
long-running services (service_controller).
"""

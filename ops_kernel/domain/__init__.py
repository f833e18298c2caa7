"""Pure domain layer: statuses, workflow definitions, rules, settings, DTOs."""

"""Service layer: one class per engine component, all returning ServiceResult."""

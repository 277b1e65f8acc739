"""Application layer: repository interface and result DTOs."""

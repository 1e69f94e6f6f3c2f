"""Supporting services: driver factory, status normalization, health caching, channel and provider lookup."""

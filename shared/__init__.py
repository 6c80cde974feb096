"""Framework-free domain pieces shared by the API and its tests."""

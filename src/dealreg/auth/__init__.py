"""Identity and authorization -- session tokens, role policy and the admin registry."""

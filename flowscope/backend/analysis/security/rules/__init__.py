"""Security rule modules; every BaseSecurityRule subclass here is loaded at start-up."""

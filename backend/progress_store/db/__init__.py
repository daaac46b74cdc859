"""Database Schema — prefix-qualified Core tables and the startup schema updater."""

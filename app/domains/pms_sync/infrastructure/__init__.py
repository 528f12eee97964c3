# Infrastructure Layer - PMS Sync
# Contains PMS adapters, repositories, persistence, locking and the credential vault

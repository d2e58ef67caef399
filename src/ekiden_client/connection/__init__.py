from ekiden_client.connection.rest_client import EkidenRESTClient

__all__ = ["EkidenRESTClient"]

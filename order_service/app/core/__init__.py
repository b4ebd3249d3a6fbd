SERVICE_NAME = "order-service"

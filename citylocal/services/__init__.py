# services -- directory business logic; routes stay thin and only translate HTTP

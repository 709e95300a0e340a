#!/usr/bin/env python
"""
Ejecuta la API en producción usando Waitress.

Uso:
    python run_production.py              # Puerto por defecto: 5000
    python run_production.py 8080         # Puerto personalizado: 8080
    python run_production.py 0.0.0.0 8080 # Host y puerto personalizados
"""

import sys
from waitress import serve
from ccamem import create_app

app = create_app()

if __name__ == "__main__":
    host = "localhost"
    port = 5000

    if len(sys.argv) > 1:
        try:
            if len(sys.argv) == 2:
                port = int(sys.argv[1])
            else:
                host = sys.argv[1]
                port = int(sys.argv[2])
        except ValueError:
            print("Error: el puerto debe ser un número válido")
            print("Uso: python run_production.py [puerto] o python run_production.py [host] [puerto]")
            sys.exit(1)

    print(f"""
    ╔═══════════════════════════════════════════════════════════════╗
    ║         CCAMEM ARCHIVO - API REST (SERVIDOR DE PRODUCCIÓN)    ║
    ╚═══════════════════════════════════════════════════════════════╝

    Servidor: Waitress WSGI
    Host: {host}
    Puerto: {port}
    HTTPS: No (usar detrás de un proxy reverso como Nginx)

    API disponible en: http://{host}:{port}/api
    Presiona CTRL+C para detener el servidor
    """)

    serve(
        app,
        host=host,
        port=port,
        threads=8,           # Número de threads para manejar conexiones
        channel_timeout=300, # Las exportaciones y la carga a SISER pueden tardar
        log_socket_errors=False,
    )

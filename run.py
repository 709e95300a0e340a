# Importa la función que crea y configura la aplicación Flask.
from ccamem import create_app

# Crea una instancia de la aplicación llamando a la factoría.
app = create_app()

# Se activa solo cuando el script es ejecutado directamente.
if __name__ == "__main__":
    # ADVERTENCIA: servidor de desarrollo. En producción usar run_production.py (Waitress).
    app.run(host='0.0.0.0', port=5000, debug=True)

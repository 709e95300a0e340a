# RUTA: ccamem/infrastructure/persistence/sqlserver_repository.py

import logging
import os
import sqlite3
import subprocess
from datetime import datetime, timedelta

from ccamem.core.errors import ErrorDuplicado, ErrorNoEncontrado
from ccamem.database.connector import get_db_read, get_db_write, get_dialecto
from ccamem.domain.models.usuario import Usuario
from ccamem.domain.repositories.i_auditoria_repository import IAuditoriaRepository
from ccamem.domain.repositories.i_usuario_repository import IUsuarioRepository
from ccamem.infrastructure.persistence.consultas import (
    FiltroConsulta, _row_to_dict, _rows_to_dicts, bandera, calcular_diferencias, desde,
    hasta_fin_de_dia, igual, paginar, registrar_historial, registrar_log_auditoria, texto_libre,
)
from ccamem.utils.fechas import ahora, formatear_timestamp

logger = logging.getLogger(__name__)

USUARIO_SELECT = """
    SELECT u.id, u.nombre, u.email, u.password, u.rol, u.area, a.nombre AS area_nombre,
           u.activo, u.ultimo_acceso, u.created_at, u.updated_at
"""

USUARIO_FROM = "FROM usuarios u LEFT JOIN areas a ON u.area = a.codigo"


class SqlServerUsuarioRepository(IUsuarioRepository):

    filtro = FiltroConsulta(
        search=texto_libre('u.nombre', 'u.email'),
        rol=igual('u.rol'),
        area=igual('u.area'),
        activo=bandera('u.activo'),
    )

    def _find_one(self, condicion, valor):
        conn = get_db_read()
        cursor = conn.cursor()
        try:
            cursor.execute(f"{USUARIO_SELECT} {USUARIO_FROM} WHERE {condicion}", (valor,))
            row_dict = _row_to_dict(cursor, cursor.fetchone())
            return Usuario(**row_dict) if row_dict else None
        finally:
            cursor.close()
            conn.close()

    def find_by_id(self, user_id):
        """Busca un usuario por su ID, con el nombre de su área."""
        return self._find_one("u.id = ?", user_id)

    def find_by_email(self, email):
        """Busca un usuario por correo, sin distinguir mayúsculas (para login)."""
        return self._find_one("LOWER(u.email) = LOWER(?)", (email or '').strip())

    def email_en_uso(self, email, excluir_id=None):
        conn = get_db_read()
        cursor = conn.cursor()
        try:
            if excluir_id is None:
                cursor.execute("SELECT COUNT(*) FROM usuarios WHERE LOWER(email) = LOWER(?)", (email,))
            else:
                cursor.execute("SELECT COUNT(*) FROM usuarios WHERE LOWER(email) = LOWER(?) AND id <> ?",
                               (email, excluir_id))
            return cursor.fetchone()[0] > 0
        finally:
            cursor.close()
            conn.close()

    def area_existe(self, codigo):
        conn = get_db_read()
        cursor = conn.cursor()
        try:
            cursor.execute("SELECT COUNT(*) FROM areas WHERE codigo = ?", (codigo,))
            return cursor.fetchone()[0] > 0
        finally:
            cursor.close()
            conn.close()

    def get_all_paginated(self, filtros, page, limit):
        conn = get_db_read()
        cursor = conn.cursor()
        try:
            where, params = self.filtro.construir(filtros)
            select = ("SELECT u.id, u.nombre, u.email, u.rol, u.area AS area_codigo, a.nombre AS area_nombre, "
                      "u.activo, u.ultimo_acceso, u.created_at, u.updated_at")
            pagina = paginar(cursor, get_dialecto(), select, f"{USUARIO_FROM}{where}", params,
                             "u.created_at DESC, u.id DESC", page, limit)
            for item in pagina.items:
                item['activo'] = bool(item['activo'])
            return pagina
        finally:
            cursor.close()
            conn.close()

    def create_user(self, nombre, email, password_hash, rol, area, creado_por):
        """
        Crea un nuevo usuario. La verificación de duplicado, el INSERT y el
        historial van en la misma transacción.
        """
        conn = get_db_write()
        cursor = conn.cursor()
        try:
            cursor.execute("SELECT COUNT(*) FROM usuarios WHERE LOWER(email) = LOWER(?)", (email,))
            if cursor.fetchone()[0] > 0:
                raise ErrorDuplicado('Ya existe un usuario con ese correo electrónico')

            marca = ahora()
            cursor.execute(
                "INSERT INTO usuarios (nombre, email, password, rol, area, activo, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (nombre, email.lower(), password_hash, rol, area, 1, marca, marca)
            )
            new_id = get_dialecto().ultimo_id(cursor)
            registrar_historial(cursor, 'usuarios', new_id, creado_por, 'creacion', 'nuevo_usuario', None, email.lower())
            conn.commit()
            logger.info(f"Usuario creado: {email} (ID: {new_id})")
            return new_id
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def update_user(self, user_id, cambios, actualizado_por):
        """
        Aplica los cambios enviados y registra una fila de historial por cada
        campo que realmente cambia. Devuelve la lista de campos modificados.
        """
        conn = get_db_write()
        cursor = conn.cursor()
        try:
            cursor.execute("SELECT id, nombre, email, password, rol, area, activo FROM usuarios WHERE id = ?", (user_id,))
            anterior = _row_to_dict(cursor, cursor.fetchone())
            if not anterior:
                raise ErrorNoEncontrado('Usuario no encontrado')

            if 'email' in cambios:
                cursor.execute("SELECT COUNT(*) FROM usuarios WHERE LOWER(email) = LOWER(?) AND id <> ?",
                               (cambios['email'], user_id))
                if cursor.fetchone()[0] > 0:
                    raise ErrorDuplicado('Ya existe otro usuario con ese correo electrónico')

            diferencias = calcular_diferencias(anterior, cambios)
            if diferencias:
                asignaciones = ', '.join(f"{campo} = ?" for campo, _, _ in diferencias)
                valores = [nuevo for _, _, nuevo in diferencias]
                cursor.execute(f"UPDATE usuarios SET {asignaciones}, updated_at = ? WHERE id = ?",
                               tuple(valores + [ahora(), user_id]))
                for campo, previo, nuevo in diferencias:
                    if campo == 'password':
                        # Nunca se guarda el hash en el historial
                        previo, nuevo = '********', '********'
                    registrar_historial(cursor, 'usuarios', user_id, actualizado_por, 'modificacion', campo, previo, nuevo)
            conn.commit()
            return [campo for campo, _, _ in diferencias]
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def deactivate_user(self, user_id, eliminado_por):
        """Desactiva (borrado lógico) un usuario por su ID."""
        conn = get_db_write()
        cursor = conn.cursor()
        try:
            cursor.execute("UPDATE usuarios SET activo = 0, updated_at = ? WHERE id = ?", (ahora(), user_id))
            if cursor.rowcount == 0:
                raise ErrorNoEncontrado('Usuario no encontrado')
            registrar_historial(cursor, 'usuarios', user_id, eliminado_por, 'eliminacion', 'activo', True, False)
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def update_password(self, user_id, password_hash, actualizado_por):
        """Actualiza la contraseña de un usuario por su ID."""
        conn = get_db_write()
        cursor = conn.cursor()
        try:
            cursor.execute("UPDATE usuarios SET password = ?, updated_at = ? WHERE id = ?",
                           (password_hash, ahora(), user_id))
            if cursor.rowcount == 0:
                raise ErrorNoEncontrado('Usuario no encontrado')
            registrar_historial(cursor, 'usuarios', user_id, actualizado_por, 'modificacion', 'password',
                                '********', '********')
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def update_last_login(self, user_id):
        conn = get_db_write()
        cursor = conn.cursor()
        try:
            cursor.execute("UPDATE usuarios SET ultimo_acceso = ? WHERE id = ?", (ahora(), user_id))
            conn.commit()
        finally:
            cursor.close()
            conn.close()

    def get_estadisticas(self):
        conn = get_db_read()
        cursor = conn.cursor()
        try:
            cursor.execute("""
                SELECT
                    SUM(CASE WHEN activo = 1 THEN 1 ELSE 0 END) AS usuarios_activos,
                    SUM(CASE WHEN activo = 0 THEN 1 ELSE 0 END) AS usuarios_inactivos,
                    COUNT(*) AS total_usuarios,
                    SUM(CASE WHEN rol = 'admin' THEN 1 ELSE 0 END) AS administradores,
                    SUM(CASE WHEN rol = 'usuario' THEN 1 ELSE 0 END) AS usuarios,
                    SUM(CASE WHEN rol = 'consulta' THEN 1 ELSE 0 END) AS consulta,
                    COUNT(DISTINCT area) AS areas_con_usuarios
                FROM usuarios
            """)
            stats = _row_to_dict(cursor, cursor.fetchone())

            cursor.execute("""
                SELECT COALESCE(a.nombre, 'Sin área') AS area_nombre, COUNT(u.id) AS cantidad
                FROM usuarios u
                LEFT JOIN areas a ON u.area = a.codigo
                WHERE u.activo = 1
                GROUP BY a.nombre
                ORDER BY cantidad DESC
            """)
            por_area = _rows_to_dicts(cursor, cursor.fetchall())
            return stats, por_area
        finally:
            cursor.close()
            conn.close()


# Bitácora del sistema (logs_auditoria) e historial de cambios.
class SqlServerAuditoriaRepository(IAuditoriaRepository):

    filtro_logs = FiltroConsulta(
        usuario_id=igual('usuario_id', int),
        modulo=igual('modulo'),
        accion=igual('accion'),
        resultado=igual('resultado'),
        fecha_inicio=desde('created_at'),
        fecha_fin=hasta_fin_de_dia('created_at'),
    )

    filtro_historial = FiltroConsulta(
        tabla=igual('h.tabla_afectada'),
        registro_id=igual('h.registro_id', int),
        usuario_id=igual('h.usuario_id', int),
        tipo_cambio=igual('h.tipo_cambio'),
    )

    def log_event(self, datos):
        conn = get_db_write()
        cursor = conn.cursor()
        try:
            registrar_log_auditoria(cursor, **datos)
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def get_logs_paginated(self, filtros, page, limit):
        conn = get_db_read()
        cursor = conn.cursor()
        try:
            where, params = self.filtro_logs.construir(filtros)
            select = ("SELECT id, usuario_id, usuario_email, usuario_nombre, accion, modulo, descripcion, "
                      "ip_address, resultado, mensaje_error, duracion_ms, created_at")
            return paginar(cursor, get_dialecto(), select, f"FROM logs_auditoria{where}", params,
                           "created_at DESC, id DESC", page, limit)
        finally:
            cursor.close()
            conn.close()

    def get_historial_paginated(self, filtros, page, limit):
        conn = get_db_read()
        cursor = conn.cursor()
        try:
            where, params = self.filtro_historial.construir(filtros)
            select = ("SELECT h.id, h.tabla_afectada, h.registro_id, h.usuario_id, u.nombre AS usuario_nombre, "
                      "h.tipo_cambio, h.campo_modificado, h.valor_anterior, h.valor_nuevo, h.created_at")
            return paginar(cursor, get_dialecto(), select,
                           f"FROM historial_cambios h LEFT JOIN usuarios u ON h.usuario_id = u.id{where}",
                           params, "h.created_at DESC, h.id DESC", page, limit)
        finally:
            cursor.close()
            conn.close()

    def get_estadisticas(self):
        conn = get_db_read()
        cursor = conn.cursor()
        try:
            ahora_dt = datetime.now()
            hace_24h = formatear_timestamp(ahora_dt - timedelta(hours=24))
            hace_7d = formatear_timestamp(ahora_dt - timedelta(days=7))
            hace_30d = formatear_timestamp(ahora_dt - timedelta(days=30))

            cursor.execute("""
                SELECT
                    COUNT(*) AS total_logs,
                    COUNT(DISTINCT usuario_id) AS usuarios_activos,
                    COUNT(DISTINCT modulo) AS modulos_usados,
                    SUM(CASE WHEN resultado = 'exitoso' THEN 1 ELSE 0 END) AS acciones_exitosas,
                    SUM(CASE WHEN resultado = 'error' THEN 1 ELSE 0 END) AS acciones_error,
                    SUM(CASE WHEN created_at >= ? THEN 1 ELSE 0 END) AS ultimas_24h,
                    SUM(CASE WHEN created_at >= ? THEN 1 ELSE 0 END) AS ultimos_7d
                FROM logs_auditoria
            """, (hace_24h, hace_7d))
            estadisticas = {k: int(v or 0) for k, v in _row_to_dict(cursor, cursor.fetchone()).items()}

            sql, params = get_dialecto().paginar(
                "SELECT accion, COUNT(*) AS total FROM logs_auditoria WHERE created_at >= ? "
                "GROUP BY accion ORDER BY total DESC", [hace_30d], 10, 0)
            cursor.execute(sql, tuple(params))
            acciones = _rows_to_dicts(cursor, cursor.fetchall())

            cursor.execute(
                "SELECT modulo, COUNT(*) AS total FROM logs_auditoria WHERE created_at >= ? "
                "GROUP BY modulo ORDER BY total DESC", (hace_30d,))
            modulos = _rows_to_dicts(cursor, cursor.fetchall())

            return {
                'estadisticas': estadisticas,
                'acciones_frecuentes': acciones,
                'actividad_modulos': modulos,
            }
        finally:
            cursor.close()
            conn.close()

    def limpiar_logs(self, dias, usuario):
        """Elimina los logs anteriores a 'dias' y deja constancia en la misma transacción."""
        conn = get_db_write()
        cursor = conn.cursor()
        try:
            limite = formatear_timestamp(datetime.now() - timedelta(days=dias))
            cursor.execute("DELETE FROM logs_auditoria WHERE created_at < ?", (limite,))
            eliminados = cursor.rowcount
            registrar_log_auditoria(cursor, 'limpiar_logs', 'configuracion',
                                    f"Logs eliminados: {eliminados} (mayores a {dias} días)", usuario=usuario)
            conn.commit()
            return eliminados
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()


class SqlServerConfiguracionRepository:

    def get_all_sistema(self):
        conn = get_db_read()
        cursor = conn.cursor()
        try:
            cursor.execute("SELECT id, clave, valor, tipo, categoria, descripcion, editable "
                           "FROM configuracion_sistema ORDER BY categoria, clave")
            return _rows_to_dicts(cursor, cursor.fetchall())
        finally:
            cursor.close()
            conn.close()

    def find_by_clave(self, clave):
        conn = get_db_read()
        cursor = conn.cursor()
        try:
            cursor.execute("SELECT id, clave, valor, tipo, categoria, descripcion, editable "
                           "FROM configuracion_sistema WHERE clave = ?", (clave,))
            return _row_to_dict(cursor, cursor.fetchone())
        finally:
            cursor.close()
            conn.close()

    def get_valores_por_prefijo(self, prefijo):
        conn = get_db_read()
        cursor = conn.cursor()
        try:
            cursor.execute("SELECT clave, valor FROM configuracion_sistema WHERE clave LIKE ?", (f"{prefijo}%",))
            return {row[0]: row[1] for row in cursor.fetchall()}
        finally:
            cursor.close()
            conn.close()

    def update_valor(self, clave, valor_anterior, valor_nuevo, usuario):
        """Actualiza el valor y registra la auditoría en la misma transacción."""
        conn = get_db_write()
        cursor = conn.cursor()
        try:
            cursor.execute("UPDATE configuracion_sistema SET valor = ?, updated_at = ? WHERE clave = ?",
                           (valor_nuevo, ahora(), clave))
            if cursor.rowcount == 0:
                raise ErrorNoEncontrado('Configuración no encontrada')
            registrar_log_auditoria(cursor, 'actualizar_configuracion', 'configuracion',
                                    f"Configuración actualizada: {clave}", usuario=usuario,
                                    datos_anteriores={'valor': valor_anterior},
                                    datos_nuevos={'valor': valor_nuevo})
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def get_notificaciones(self):
        conn = get_db_read()
        cursor = conn.cursor()
        try:
            cursor.execute("SELECT id, tipo_notificacion, activa, enviar_email, enviar_sistema, asunto_email, "
                           "roles_destino FROM configuracion_notificaciones ORDER BY tipo_notificacion")
            return _rows_to_dicts(cursor, cursor.fetchall())
        finally:
            cursor.close()
            conn.close()

    def update_notificacion(self, notificacion_id, datos, usuario):
        conn = get_db_write()
        cursor = conn.cursor()
        try:
            cursor.execute("SELECT * FROM configuracion_notificaciones WHERE id = ?", (notificacion_id,))
            anterior = _row_to_dict(cursor, cursor.fetchone())
            if not anterior:
                raise ErrorNoEncontrado('Notificación no encontrada')
            cursor.execute(
                "UPDATE configuracion_notificaciones SET activa = ?, enviar_email = ?, enviar_sistema = ?, "
                "asunto_email = ?, updated_at = ? WHERE id = ?",
                (datos['activa'], datos['enviar_email'], datos['enviar_sistema'], datos['asunto_email'],
                 ahora(), notificacion_id)
            )
            registrar_log_auditoria(cursor, 'actualizar_notificacion', 'configuracion',
                                    f"Notificación actualizada: {anterior['tipo_notificacion']}",
                                    usuario=usuario, datos_anteriores=anterior, datos_nuevos=datos)
            cursor.execute("SELECT id, tipo_notificacion, activa, enviar_email, enviar_sistema, asunto_email, "
                           "roles_destino FROM configuracion_notificaciones WHERE id = ?", (notificacion_id,))
            actualizado = _row_to_dict(cursor, cursor.fetchone())
            conn.commit()
            return actualizado
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def get_database_info(self):
        conn = get_db_read()
        cursor = conn.cursor()
        dialecto = get_dialecto()
        try:
            info = {}
            for tabla in ('usuarios', 'expedientes', 'documentos'):
                cursor.execute(f"SELECT COUNT(*) FROM {tabla}")
                info[f"total_{tabla}"] = cursor.fetchone()[0]
            info['motor'] = dialecto.nombre
            info['version'] = dialecto.version(cursor)
            tamano = dialecto.tamano_bytes(cursor)
            info['tamano_db'] = tamano
            info['tamano_db_mb'] = round(tamano / 1024 / 1024, 2)
            return info
        finally:
            cursor.close()
            conn.close()


class SqlServerBackupRepository:

    # --- CONFIGURACIÓN DE RESPALDOS ---
    def get_respaldos(self):
        conn = get_db_read()
        cursor = conn.cursor()
        try:
            cursor.execute("""
                SELECT id, nombre, tipo, frecuencia, hora_ejecucion, dia_semana, dia_mes, activo,
                       ultima_ejecucion, proximo_ejecucion, incluir_documentos, incluir_base_datos,
                       ruta_destino, retener_dias
                FROM configuracion_respaldos
                ORDER BY nombre
            """)
            return _rows_to_dicts(cursor, cursor.fetchall())
        finally:
            cursor.close()
            conn.close()

    def find_respaldo(self, respaldo_id):
        conn = get_db_read()
        cursor = conn.cursor()
        try:
            cursor.execute("SELECT * FROM configuracion_respaldos WHERE id = ?", (respaldo_id,))
            return _row_to_dict(cursor, cursor.fetchone())
        finally:
            cursor.close()
            conn.close()

    def create_respaldo(self, datos, usuario):
        """Inserta la configuración del respaldo y su auditoría en la misma transacción."""
        conn = get_db_write()
        cursor = conn.cursor()
        try:
            cursor.execute("SELECT COUNT(*) FROM configuracion_respaldos WHERE nombre = ?", (datos['nombre'],))
            if cursor.fetchone()[0] > 0:
                raise ErrorDuplicado('Ya existe un respaldo con ese nombre')
            cursor.execute(
                """
                INSERT INTO configuracion_respaldos
                    (nombre, tipo, frecuencia, hora_ejecucion, dia_semana, dia_mes, activo,
                     incluir_documentos, incluir_base_datos, ruta_destino, retener_dias,
                     proximo_ejecucion, created_at)
                VALUES (?, ?, ?, ?, ?, ?, 1, ?, ?, ?, ?, ?, ?)
                """,
                (datos['nombre'], datos['tipo'], datos['frecuencia'], datos.get('hora_ejecucion'),
                 datos.get('dia_semana'), datos.get('dia_mes'), int(datos.get('incluir_documentos', True)),
                 int(datos.get('incluir_base_datos', True)), datos.get('ruta_destino'),
                 datos.get('retener_dias') or 30, datos.get('proximo_ejecucion'), ahora())
            )
            nuevo_id = get_dialecto().ultimo_id(cursor)
            registrar_log_auditoria(cursor, 'configurar_respaldo', 'configuracion',
                                    f"Respaldo configurado: {datos['nombre']}", usuario=usuario, datos_nuevos=datos)
            conn.commit()
            return nuevo_id
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def marcar_ejecucion(self, respaldo_id, proxima):
        conn = get_db_write()
        cursor = conn.cursor()
        try:
            cursor.execute("UPDATE configuracion_respaldos SET ultima_ejecucion = ?, proximo_ejecucion = ? WHERE id = ?",
                           (ahora(), proxima, respaldo_id))
            conn.commit()
        finally:
            cursor.close()
            conn.close()

    # --- EJECUCIÓN DEL RESPALDO DE BASE DE DATOS ---
    def run_db_backup(self, config, file_path):
        """
        SQL Server: BACKUP DATABASE con sqlcmd.
        SQLite: copia en caliente con la API de backup de sqlite3.
        """
        if config.get('DB_ENGINE') == 'sqlite':
            origen = sqlite3.connect(config['DB_SQLITE_PATH'])
            destino = sqlite3.connect(file_path)
            try:
                origen.backup(destino)
            finally:
                destino.close()
                origen.close()
            logger.info(f"Respaldo SQLite generado en {file_path}")
            return file_path

        db_server = config.get('DB_SERVER')
        db_username = os.getenv('DB_USERNAME_SA') or config.get('DB_USERNAME_WRITE')
        db_password = os.getenv('DB_PASSWORD_SA') or config.get('DB_PASSWORD_WRITE')
        db_name = config.get('DB_DATABASE')
        if not all([db_server, db_username, db_password, db_name]):
            raise ValueError("Variables de BD no configuradas en .env")
        # Literales T-SQL: ' se duplica dentro de N'...' y ] dentro de [...]
        ruta_sql = file_path.replace("'", "''")
        nombre_sql = db_name.replace(']', ']]')
        backup_query = f"BACKUP DATABASE [{nombre_sql}] TO DISK = N'{ruta_sql}' WITH STATS = 10;"
        sqlcmd_command = ["sqlcmd", "-S", db_server, "-U", db_username, "-P", db_password, "-Q", backup_query, "-b"]
        process = subprocess.run(sqlcmd_command, capture_output=True, text=True, timeout=600, check=False)
        if process.returncode != 0:
            logger.error(f"Fallo de sqlcmd. Código: {process.returncode} Error: {process.stderr} Salida: {process.stdout}")
            raise RuntimeError("Fallo en la ejecución de sqlcmd.")
        logger.info(f"sqlcmd completó el backup en {file_path}")
        return file_path

"""
Pipeline de documentacion one-way: metadata de Salesforce -> Notion.

Este paquete proyecta un snapshot de metadata (objetos, perfiles, flows)
en paginas y bases de datos de Notion.

Objetivos de diseño:
- Idempotencia: se puede ejecutar N veces sin duplicar filas ni paginas.
- Merge conservador: solo se completan columnas vacias en Notion; nunca se
  pisa un valor que un humano ya haya editado.
- Progreso ante fallos: reintentos por fila con timeout y backoff lineal;
  una fila o tabla fallida no aborta el resto del sync.
- Plantillas explicitas: forma de paginas/tablas declarada en código.
"""
